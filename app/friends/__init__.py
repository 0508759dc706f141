"""
Friends app.

Friend requests and the symmetric friendship graph between users. The
friendship edges themselves live on authentication.User.friends; this app
owns the pending requests, the services that move users between the two
states, and the reconciliation job that keeps the edges symmetric.
"""
