"""Guild settings storage and the permission checks built on top of it."""
