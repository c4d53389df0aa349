"""Academy dashboard package.

This package is organized by feature modules (timetable, transfers, feeds, ...)
with a thin Flask controller layer over service/repository layers.
"""
