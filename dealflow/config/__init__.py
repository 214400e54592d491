from .settings import settings, Settings
from .triage import GuardrailConfig, ThesisConfig, TriageConfig, normalize_label

__all__ = [
    "settings",
    "Settings",
    "GuardrailConfig",
    "ThesisConfig",
    "TriageConfig",
    "normalize_label",
]
