"""
Pipeline Exceptions
===================

Failure types raised while turning an order event into an insight.

Taxonomy:
- BoundaryRejectError: the event cannot be processed at all (no order id,
  no shop domain). Terminal; nothing is sent downstream.
- DeliveryError: the insight POST to the ingestion route failed.
- InsightGenerationError (and subclasses) live in pipeline/ai_service.py
  next to the code that raises them.

Customer-data lookup failures are not exceptions: the delivery client
returns an unsuccessful CustomerDataResponse and the handler falls back to
the heuristic classification.

RELATED FILES
-------------
- order_insights/pipeline/handler.py: Catches and maps these exceptions
- order_insights/pipeline/order_processor.py: Raises ShopDomainNotFoundError
"""

from typing import Optional


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BoundaryRejectError(PipelineError):
    """The event was rejected before any downstream call was attempted.

    `public_message` is what the handler puts in its 400 body.
    """

    status_code = 400

    def __init__(self, message: str, public_message: Optional[str] = None):
        super().__init__(message)
        self.public_message = public_message or message


class ShopDomainNotFoundError(BoundaryRejectError):
    """Neither event metadata nor configuration names the shop."""

    def __init__(self):
        super().__init__(
            "Shop domain not found in event metadata or configuration",
            public_message="Missing shop domain",
        )


class DeliveryError(PipelineError):
    """The ingestion route did not accept the insight payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
