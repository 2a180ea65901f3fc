# Services package init
"""
Drone Routes Backend — Services Layer
=======================================

What:  Business logic between the HTTP routes and the database.

Service Inventory:
    - csv_parser:     Telemetry CSV → ordered ParsedPoint list (pure)
    - photo_matcher:  File-name matching between points and uploads (pure)
    - object_store:   MinIO gateway (upload, exists, URL resolution)
    - route_service:  Route assembly: parse, save, photo fan-out, recount
    - drone_service:  Drone CRUD and drone reference resolution
"""
