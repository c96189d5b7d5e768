"""Command line interface for VisoLearn."""
