"""Document templates: loading, caching and the built-in default."""

from .loader import TemplateLoader, builtin_template, get_template_loader

__all__ = ["TemplateLoader", "builtin_template", "get_template_loader"]
