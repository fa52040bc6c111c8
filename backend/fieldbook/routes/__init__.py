# Routes package init
"""
Fieldbook Backend — API Routes Package
========================================

What:  HTTP route handlers for the read-only record API.

Route Inventory:
    - recipe_files.py:  GET /api/recipe-files            (owner's file-backed recipes)
                        GET /api/recipe-files/{slug}     (one file-backed recipe)
    - records.py:       GET /api/{kind}                  (list records of a kind)
                        GET /api/{kind}/{slug}           (one record by slug)
    - health.py:        GET /health                      (service health check)

Design Principle:
    Routes stay thin: resolve path and query parameters, call a service, set
    response headers. Visibility and normalization rules live in services.
"""
