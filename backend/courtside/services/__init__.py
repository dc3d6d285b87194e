"""
Services Layer

Pure scheduling logic that:
- Accepts domain inputs (session window, attendance, courts, schedules)
- Returns new domain outputs (schedules, reports)
- Does NOT depend on transport or storage
- Does NOT mutate its inputs
"""
