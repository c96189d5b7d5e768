"""
Delivery: terminal rendering and file export.

Components:
- exporter: saved images and JSON session log (ExportReport)
- practice_visuals: Rich progress view, checklist and chat
"""

from .exporter import ExportReport, save_all_session_images, save_session_log

__all__ = [
    "ExportReport",
    "save_all_session_images",
    "save_session_log",
]
