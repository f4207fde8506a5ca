# src/admitflow/paths.py
import os

# Base directory pointing to the admitflow package folder
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "."))

# Directory containing the bundled reference tables
DATA_DIR = os.path.join(BASE_DIR, "data")

# JSON files
ALIAS_FILE = os.path.join(DATA_DIR, "school_aliases.json")
BLOCKLIST_FILE = os.path.join(DATA_DIR, "school_blocklist.json")
REFERENCE_SCHOOLS_FILE = os.path.join(DATA_DIR, "reference_schools.json")
