"""
refuse_ingestion -- legacy data transformation ("data archaeology").

Field-mapping driven pipeline turning heterogeneous legacy exports into
canonical entity payloads, with per-record failure isolation, batch
statistics and reports, legacy system connectors, and a command-line tool.
"""
