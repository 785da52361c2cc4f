"""
                        Services Module

Business logic kept out of the route handlers. External integrations
follow the hybrid pattern: a Mock implementation for development and a
Real one for staging/production, chosen by a cached factory.

Services:
    - payment: Stripe hosted checkout, refunds and webhooks
    - assistant: OpenAI chat completions for the menu assistant
    - orders: pricing, checkout branching and the status lifecycle
    - chat_session: AI session bookkeeping and recommendations
    - reservations: slot validation and capacity checks
"""
