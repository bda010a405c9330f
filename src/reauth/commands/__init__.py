"""Built-in CLI sub-commands for reauth.

* :mod:`~reauth.commands.profiles` -- list, show, add, remove, enable and
  disable profiles.
* :mod:`~reauth.commands.config` -- view and modify global settings.
* :mod:`~reauth.commands.login` -- test a profile's login and extraction.
* :mod:`~reauth.commands.inject` -- splice a token into a raw request file.
* :mod:`~reauth.commands.fetch` -- send a request with re-authentication.
* :mod:`~reauth.commands.match` -- show which profile governs a URL.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands export a plain callback registered on the root app.
"""
