"""
Out-of-sample model comparison for weekly avocado volume forecasting.

Modules
-------
splits      Fixed train/test cutoff on the shared weekly calendar.
models      Per-series models: naive, ARIMA family, TSLM + Fourier.
sur         Cross-series seemingly-unrelated regression.
metrics     RMSE, MAPE, MAE and supporting record types.
evaluator   Fits every model to every series and builds the ensemble.
slices      Aggregate metrics by model, series, type and horizon.
reporter    Write CSV summaries, Parquet forecasts and a JSON manifest.
"""
