"""Pro activation tokens backed by Stripe subscription state."""

__version__ = "0.1.0"
