from lhserver.core.credentials.broker import CredentialBroker, GDBusCredentialBroker
from lhserver.core.credentials.manager import CredentialManager, CredentialPair

__all__ = ["CredentialBroker", "CredentialManager", "CredentialPair", "GDBusCredentialBroker"]
