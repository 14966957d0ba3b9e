from .slack import SlackBridge

__all__ = ["SlackBridge"]
