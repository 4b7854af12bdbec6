#!/usr/bin/env python
"""
Label Forge - Standalone Entry Point

Run directly:
    python main.py

Or with environment variables:
    LABEL_FORGE_PORT=5200 python main.py
"""

from label_forge.app import main


if __name__ == '__main__':
    main()
