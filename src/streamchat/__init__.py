"""streamchat: streaming Gemini chat with a small markdown renderer."""

__version__ = "0.1.0"
