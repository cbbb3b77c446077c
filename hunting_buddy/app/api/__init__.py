"""HTTP API of the Hunting Buddy service.

The route modules under `routes` define the jobs, users and auth router groups;
`hunting_buddy.app.main.create_app` mounts them under `/api/v1`. Shared
dependencies, such as the per-job access check, live in `dependencies`.

"""
