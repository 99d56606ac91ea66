"""
inkagent - tool-augmented LLM response pipeline for the blog assistant.

This package provides:
- A capability registry and a tag-wrapped JSON invocation protocol
- A bounded Thought-Action-Observation agent loop
- Two streaming encodings: discrete SSE events and in-band tagged text
"""

__version__ = "0.4.0"
