"""
Feature modules live under this package.

Keep module boundaries clean: each module owns its models, service functions and API
blueprint, while reusing platform primitives (auth, errors, storage, DB session, cache).
"""
