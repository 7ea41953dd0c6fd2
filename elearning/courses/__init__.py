"""
Kurs-Katalog - DSP (Digital Solutions Platform)

Katalog-Modelle (Community, Course) und der Enrollment-Store.
Das Settlement-System liest Kurse nur und schreibt Enrollments ausschließlich
per Upsert.

Author: DSP Development Team
Created: 02.10.2025
Version: 1.0.0
"""
