"""
Exploratory analysis of the avocado panel.

Modules
-------
exploratory  Summary tables: per-type totals, price/volume correlation,
             monthly profile, largest regions, national weekly totals.
elasticity   Pooled log-log regression of volume on price.
"""
