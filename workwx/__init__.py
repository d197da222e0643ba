"""Enterprise WeChat (WeCom) callback message parsing, token caching, user info records and group-robot webhooks."""

__version__ = "0.1.0"