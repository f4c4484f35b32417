import os

# The web app builds its store at import time; keep it off the working directory.
os.environ.setdefault("SIMULATION_DATABASE_URL", "sqlite://")
