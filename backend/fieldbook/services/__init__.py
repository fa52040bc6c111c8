# Services package init
"""
Fieldbook Backend — Services Layer
====================================

What:  Read-path logic between the routes (HTTP) and the record store.

Service Inventory:
    - record_kinds:    content kind registry (table + client messages)
    - document_codec:  tagged decoding of the embedded JSON document
    - shape_merger:    document + row fields → NormalizedRecord
    - record_locator:  visibility-aware lookups and listings
    - record_service:  locate → merge orchestration for the routes
    - file_records:    file-backed recipe records and their owner index
"""
