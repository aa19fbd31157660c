"""
Application layer (bootstrap, routes, extension hook, invocation styles).

- Ports decouple middleware from concrete event log backends.
- Registries hold routes and the optional extension.
"""
