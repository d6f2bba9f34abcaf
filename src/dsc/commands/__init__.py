"""Built-in CLI sub-commands for dsc.

* :mod:`~dsc.commands.auth` -- ``login`` and ``logout``.
* :mod:`~dsc.commands.items` -- ``search``, ``search-summary``, ``item``,
  ``download``.
* :mod:`~dsc.commands.upload` -- ``upload`` and ``file-exists``.
* :mod:`~dsc.commands.watch` -- ``watch``.
* :mod:`~dsc.commands.admin` -- ``admin`` group (admin secret required).
* :mod:`~dsc.commands.source` -- ``source`` group.
* :mod:`~dsc.commands.signup` -- ``register`` and ``gen-invite``.

Each module either exports a :class:`typer.Typer` sub-application (for
groups like ``admin``) or plain callbacks registered on the root app.
Shared option handling lives in :mod:`~dsc.commands.common`.
"""
