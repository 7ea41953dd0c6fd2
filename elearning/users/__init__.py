"""
E-Learning Users Package - DSP (Digital Solutions Platform)

Benutzerprofile für den Kurs-Marktplatz.

Features:
- Automatische Profilerstellung durch Django-Signale
- Verkäufer-Guthaben, das bei jeder abgerechneten Bestellung atomar erhöht wird

Struktur:
- models.py: Profile und Signal-Handler

Author: DSP Development Team
Created: 10.07.2025
Version: 2.0.0
"""
