"""Guild event lifecycle."""
