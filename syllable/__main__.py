#!/usr/bin/env python3
"""
Syllable - Package Entry Point
python -m syllable で実行
"""

from syllable.presentation.cli import main

if __name__ == "__main__":
    main()
