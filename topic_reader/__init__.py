"""
Discord thread summarizer: fetch a thread, summarize it with an LLM, store the result.
"""

__version__ = "1.0.0"
