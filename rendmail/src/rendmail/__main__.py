"""Allow ``python -m rendmail`` as an alias for the ``rendmail`` command."""

from .cli import main

main()
