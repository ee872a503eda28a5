"""Crew Ledger package.

Time-entry ledger for construction crews, organised by feature modules
(employees, entries, ledger, history, reports, sync, ocr) with a thin Flask
controller layer over service/repository layers.
"""
