"""
Interface package: text-mode driver for the piece tracker.

Modules:
    console — Line-oriented command loop over stdin/stdout.
              Can be run as a standalone script: python interface/console.py
"""
