"""Order-event processing function (AWS Lambda).

Entry point: `order_insights.pipeline.handler.handler`.
"""
