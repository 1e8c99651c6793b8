"""Equipment Check: barcode-driven inventory conference service.

Run with ``uvicorn equipcheck.main:app``.
"""
