"""
Routers module - API endpoint handlers organized by feature.

Each router handles a specific domain of the API:
- appointments: Today's and ranged appointments, cache clearing
- categories: Merged category/color list
"""
