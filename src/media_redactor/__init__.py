"""Media Redactor — swaps private embedded media in notification emails
for links back to the original post."""

from .redactor import Redactor, redact
from .privacy import PrivacyPredicate, SiteResolver, StaticSiteResolver
from .notification import NotificationFilter, clean_link
from .config import ConfigError, create_filter, create_predicate, load_config, load_from_yaml
from .types import Activity, MediaKind, Messages, RedactionResult, Site

__all__ = [
    "Redactor", "redact",
    "PrivacyPredicate", "SiteResolver", "StaticSiteResolver",
    "NotificationFilter", "clean_link",
    "ConfigError", "create_filter", "create_predicate", "load_config", "load_from_yaml",
    "Activity", "MediaKind", "Messages", "RedactionResult", "Site",
]
__version__ = "0.1.0"
