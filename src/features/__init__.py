"""Per-account feature derivation."""

from .account_features import AccountFeatureBuilder

__all__ = ["AccountFeatureBuilder"]
