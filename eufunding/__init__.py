"""
EU funding assistant.

Discovers EU funding calls, ranks consortium partners against proposal
text and drafts proposals through a text-generation model.
"""

__version__ = "0.1.0"
