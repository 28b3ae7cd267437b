"""Segmenting batch and live speech-to-text pipeline."""

__version__ = "1.0.0"
