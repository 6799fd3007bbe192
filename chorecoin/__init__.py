"""chorecoin - shared household chore currency tracker."""

__version__ = "0.1.0"
