"""Read Walksnail Avatar OSD and SRT telemetry and draw them onto recorded FPV video."""

__version__ = "0.1.0"