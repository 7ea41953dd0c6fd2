"""
E-Learning Package - DSP (Digital Solutions Platform)

Dieses Paket enthält den Kurs-Marktplatz: Kurskatalog, Kauf über Stripe
oder manuelle Zahlung, Einschreibungen und Verkäufer-Auszahlungen.

Struktur:
- users/: Benutzerprofile mit Verkäufer-Guthaben
- courses/: Communities, Kurse und Einschreibungen
- payments/: Bestellungen, Abrechnung, Payouts und Kommissionen
- management/: Django Management Commands (Abgleich offener Bestellungen)

Author: DSP Development Team
Created: 10.07.2025
Version: 2.0.0
"""
