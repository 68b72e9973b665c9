"""Framecast: scene-change keyframes and speech transcripts for remote videos."""

__version__ = "0.1.0"
