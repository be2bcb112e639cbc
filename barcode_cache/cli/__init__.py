"""Command-line entry points: barcode-cache <command>."""
