"""
Variables module.
Environment layering and template rendering shared by every step.
"""

from .environment import Environment
from .template import Template, render, is_true, is_false

__all__ = ['Environment', 'Template', 'render', 'is_true', 'is_false']
