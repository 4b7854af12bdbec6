"""
Run the Label Forge service: python -m label_forge
"""

from .app import main

if __name__ == '__main__':
    main()
