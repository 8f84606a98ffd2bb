"""Commands bundled with the ``commonbin`` executable, one module per command."""
