# local imports
from .credentials import ProviderCredentials, load_provider_credentials
from .docusign_client import DocusignClient
from .schemas import ContractFields, Customer

__all__ = [
    "ContractFields",
    "Customer",
    "DocusignClient",
    "ProviderCredentials",
    "load_provider_credentials",
]
