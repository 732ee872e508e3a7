"""Business logic services used by handlers.

Services are imported lazily by handlers so importing a handler never creates
boto3 clients.
"""

# Do NOT import services here - use lazy loading in handlers instead
