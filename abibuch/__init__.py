"""Abibuch — yearbook backend (Steckbriefe, Rankings, Zitate, Fotos, Umfragen)."""
