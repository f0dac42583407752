"""Query execution: result cache, retry controller, render surface and engine."""
