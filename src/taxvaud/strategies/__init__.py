"""Document kinds and the keyword strategies bound to them."""

from .document_strategies import DocumentKind, DocumentStrategyDispatcher, FieldStrategy, FISCAL_FIELDS

__all__ = ["DocumentKind", "DocumentStrategyDispatcher", "FieldStrategy", "FISCAL_FIELDS"]
