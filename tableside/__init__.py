"""
                Tableside Restaurant Service

Backend for restaurant ordering and management: menu, cart checkout,
reservations, order history, an AI chat assistant and an admin back office,
with a hybrid Mock/Real architecture for payments and the assistant.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
