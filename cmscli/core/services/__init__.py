"""Application services: content access, fetch-all pagination, bulk runs,
import/export and payload validation.
"""
