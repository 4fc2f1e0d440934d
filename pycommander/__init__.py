"""pycommander - an embeddable command-line engine.

Builds a tree of commands out of functions, methods and classes, derives
their arguments from a one-line synopsis found in the docstrings, validates
invocations against it and resolves layered configuration (defaults, TOML
config files, command line).
"""
