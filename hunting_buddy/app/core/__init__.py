"""Core services of the Hunting Buddy API.

Configuration, the error taxonomy, authentication, input sanitization, the
image-upload client and the server lifecycle controller live in submodules
of this package.

"""
