"""zero-init: assemble a project configuration from a stack of template modules.

Usage::

    zero-init init
    python -m zeroinit.pipeline init --output ./projects
"""

__version__ = "0.1.0"
