"""Mummy static site generator.

Mummy walks a site source tree, plans one artifact per resource, and
mummifies each artifact into a mirrored target tree. Pages run through a
fixed pipeline (load, normalize, template, process, relocate, cleanse,
ascribe, serialize) that keeps references between resources intact.

The main entry point is the CLI module; `mummy.build.mummify_site` is the
programmatic equivalent of `mummy build`.
"""

__all__ = ["__version__", "GENERATOR_NAME"]
__version__ = "0.1.0"

GENERATOR_NAME = "Mummy"
