"""CrptKit: clients for the CRPT marking API."""
