"""
cartesia-gateway API Layer.

Routers:
    - routes.py: /health, /metrics
    - tts.py: /api/tts
    - voices.py: /cartesia/voices
    - auth.py: /cartesia/auth
"""
