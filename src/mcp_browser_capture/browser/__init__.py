"""Browser lifecycle and the page handle abstraction."""
