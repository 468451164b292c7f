import os

# Plots in tests are written to files, never shown
os.environ.setdefault("MPLBACKEND", "Agg")
