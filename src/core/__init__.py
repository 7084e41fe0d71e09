"""Core domain package for filescope.

Core contains authorization, normalization, search, pagination and retrieval
logic without any Telegram or storage-specific code, keeping the business
logic portable.
"""
