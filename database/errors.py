class ValidationError(ValueError):
    """A rejected command. The message is safe to show to the user as-is."""
