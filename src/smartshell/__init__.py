"""smartshell: LLM-powered shell command helper."""

__version__ = "0.3.0"
