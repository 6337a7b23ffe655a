"""Bad-debt (cartera muerta) classification and historical simulation engine."""

__version__ = "0.1.0"
