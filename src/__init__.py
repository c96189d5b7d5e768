"""VisoLearn source package."""
