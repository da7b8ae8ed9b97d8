from lhserver.web.api import create_app
from lhserver.web.render import render_prometheus, report_to_dict

__all__ = ["create_app", "render_prometheus", "report_to_dict"]
