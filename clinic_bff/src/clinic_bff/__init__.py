"""Backend-For-Frontend for the clinic admin dashboard."""
