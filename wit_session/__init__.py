"""Wit Session — request lifecycle client for the Wit.ai classification API.

WHY: Voice and text features send utterances to Wit.ai and react to the
classified intents and entities. Each exchange has real concurrency in
it (audio streamed up while the response is awaited), so one component
owns that lifecycle and everything else just sets callbacks.

HOW: config (credentials and constants) → api.RequestSession (one
exchange) → callbacks with the parsed JSON. The CLI is a thin caller.

RULES:
- One RequestSession per request; sessions share no mutable state
- Every started session reports completion exactly once
"""

__version__ = "0.1.0"
