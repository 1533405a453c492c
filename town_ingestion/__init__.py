"""
Financial data import pipeline.

Tabular text -> raw rows -> mapped and validated rows -> import result.
Pure functions in domain/ and mapping/; orchestration in services/.
"""
