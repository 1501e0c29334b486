"""
Site-Specific Fertilizer Recommendation (SSFR) modules for Ethiopian farms.

Modules:
    region      — Ethiopia bounding box and coordinate checks
    layers      — Crop → advisory layer identifiers and query dates
    client      — Next-gen Agro Advisory HTTP client (one layer per call)
    aggregator  — Fan out the five layers and merge into a recommendation
    config      — Environment-driven service configuration
    errors      — Exception taxonomy shared by the modules above
"""
