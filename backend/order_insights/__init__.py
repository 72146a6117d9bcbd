"""Order insights: AI summaries and follow-up drafts for new Shopify orders.

Two runtimes share this package:
- order_insights.pipeline: AWS Lambda that turns an orders/create event into an insight
- order_insights.main: FastAPI service that stores insights and serves customer history
"""

__version__ = "1.0.0"
