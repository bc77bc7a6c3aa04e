"""
Sparkle chat: customer chat widget backend for a cleaning-services business.

- ``server``: ``POST /api/chat`` reformatting the provider's SSE stream
- ``widget``: conversation state and the incremental reply renderer
- ``protocol``: the line-oriented data stream both sides speak
"""

__version__ = "0.1.0"
