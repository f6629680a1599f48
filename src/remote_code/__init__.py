"""remote-code: sandboxed execution of untrusted source code."""

__version__ = "0.1.0"
