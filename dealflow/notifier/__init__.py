from .notifications import SlackNotifier, build_deal_message, build_schema_error_message

__all__ = [
    "SlackNotifier",
    "build_deal_message",
    "build_schema_error_message",
]
