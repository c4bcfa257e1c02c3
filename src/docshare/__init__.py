"""QR DocShare: password-gated document sharing backend."""

__version__ = "0.1.0"
