"""HTTP routes for the GagStock Alerts bot."""
