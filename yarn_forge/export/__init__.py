"""
Exporters for parsed Yarn projects
"""

from .exporter import DialogueExporter

__all__ = ["DialogueExporter"]
