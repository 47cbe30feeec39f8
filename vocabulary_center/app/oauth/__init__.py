from .google import GoogleOAuthClient

__all__ = ["GoogleOAuthClient"]
