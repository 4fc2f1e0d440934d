"""Command tree handling for pycommander.

This package provides:
- models: Data structures (ParameterSpec, CommandNode and their enums)
- parsing: Synopsis parsing and rendering
- validator: Invocation checks against a synopsis
- docblock: Documentation parsing, source fallback for stripped docstrings
- providers: What can be registered as a command
- factory: Node creation from providers
- tree: Lookup, enumeration and invocation
"""
