"""Session resolution for panel endpoints.

The login flow itself lives outside this service; it mints signed session
tokens (see ``issue_session_token``) that endpoints resolve back into a
``SessionIdentity``. Authorization is binary: a request is authenticated or
it is not.
"""
