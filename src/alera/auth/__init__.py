"""Authentication and authorization.

Artists and admins log in with email/password and receive a bearer JWT.
Each protected request resolves that token through AuthGate into a
CurrentIdentity, at the privilege level the route asks for.
"""
