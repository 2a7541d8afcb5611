"""Feature engineering package for the avocado demand forecaster.

Modules
-------
calendar — trend / month / log transforms on the shared weekly calendar
fourier  — sine/cosine seasonal regressors
gaps     — reindexing series onto the calendar and filling short gaps
"""
