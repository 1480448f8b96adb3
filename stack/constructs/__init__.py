from .access_log_analytics import AccessLogAnalytics
from .edge_functions import EdgeFunctions
from .standard_logging import StandardLoggingV2
from .static_website import CustomDomainConfig, StaticWebsite
from .waf import WebsiteWaf

__all__ = [
    "AccessLogAnalytics",
    "CustomDomainConfig",
    "EdgeFunctions",
    "StandardLoggingV2",
    "StaticWebsite",
    "WebsiteWaf",
]
