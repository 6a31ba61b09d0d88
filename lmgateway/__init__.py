"""LM Gateway: Chat Completions and Messages API front ends for one host chat model."""

__version__ = "0.1.0"
