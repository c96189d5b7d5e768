"""
Entry point for the VisoLearn practice CLI.

Run with:
    visolearn start
    python main.py start --topic animals
"""
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from src.cli.practice_cli import main

if __name__ == "__main__":
    main()
