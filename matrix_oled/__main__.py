"""Entry point for running matrix_oled as a module.

Usage:
    python -m matrix_oled
"""

from matrix_oled.main import run

if __name__ == "__main__":
    run()
