"""HTTP layer for Framecast."""
