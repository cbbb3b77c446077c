"""Backend application for Hunting Buddy, a job-application tracker.

Notes:
    1. `main.create_app` assembles the FastAPI application from explicit settings.
    2. `core.lifecycle.ServerLifecycle` connects to MongoDB before the listener is bound.
    3. No disk, network, or database access occurs in this module directly.

"""
