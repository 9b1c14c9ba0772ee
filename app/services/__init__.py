# Services module
#
# Import services from their own modules, e.g.
#   from app.services.document_sequence_service import DocumentSequenceService
# Models depend on app.services.document_numbering, so nothing is re-exported here.
