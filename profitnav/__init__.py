# Profit Navigator - seller profit dashboard backend
__version__ = "1.0.0"
