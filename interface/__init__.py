"""
Interface package: communication protocols for the checkers engine.

Modules:
    protocol — Line-based text protocol modelled on UCI.
               Reads commands from stdin, writes responses to stdout.
               Can be run as a standalone script: python interface/protocol.py
"""
