"""
wren-agent - plan, code and test software changes with cooperating LLM agents.
"""

__version__ = "0.1.0"
