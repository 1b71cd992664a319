"""Core Application Layer: authentication and resource use cases.

AuthService and ResourceService sit on top of the ApiClient; the
CommandHandler turns their results and errors into user-facing output.
"""
