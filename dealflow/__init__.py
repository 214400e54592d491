"""Deal flow triage: fingerprint, de-duplicate, validate, score and classify startup submissions."""

__version__ = "0.1.0"
