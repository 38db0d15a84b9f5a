"""Core domain package for wabridge.

Core contains filtering, quote resolution, forwarding and connection-policy
logic without any Telegram, WhatsApp or storage-specific code.
"""
