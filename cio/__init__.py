"""
cio: business-operations API clients and Airtable sync service.
"""
__version__ = "0.1.0"
