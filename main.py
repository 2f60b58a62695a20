"""
Sound Decoder - Main Entry Point

Example usage:
    python main.py analyze path/to/call.wav
    python main.py analyze --config config/config.yaml path/to/call.wav
    python main.py history
"""

from sounddecoder.cli import main


if __name__ == "__main__":
    main()
