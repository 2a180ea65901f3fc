# Routes package init
"""
Drone Routes Backend — API Routes Package
===========================================

Route Inventory:
    - flight_routes.py:  POST /api/routes               (CSV + photos → route)
                         POST /api/routes/{id}/photos   (add missing photos)
                         GET  /api/routes/{id}          (route with photo URLs)
                         GET  /api/routes               (route list)
    - drones.py:         /api/drones CRUD + assign-route
    - health.py:         GET  /health

Routes stay thin: read the request, call a service, return its schema.
"""
