from .common import FALLBACK_NAME, default_display_name, format_address, utc_timestamp

__all__ = ["FALLBACK_NAME", "utc_timestamp", "default_display_name", "format_address"]
