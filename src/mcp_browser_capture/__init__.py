"""
MCP server for one Selenium-driven Chrome page.

Two pieces do the real work:

* ``locator`` resolves an element from a selector that may no longer match,
  falling back through text, relaxed-structure, attribute and role strategies.
* ``capture`` watches a page for a bounded window and collects every media URL
  it requests, receives, decrypts, assigns to a <video> or hands to a player.

Everything else (``browser``, ``workflow``, ``monitoring``, ``decorators``,
``tools``) exists to put those two behind MCP tools.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
