"""
LeadsFlow CRM - Default reference data

Written once by the setup wizard. Rows are keyed by name, so seeding twice
leaves the collections unchanged.
"""

DEFAULT_PIPELINE_STAGES = [
    {"name": "New Lead", "order": 1, "color": "#3b82f6"},
    {"name": "Contacted", "order": 2, "color": "#8b5cf6"},
    {"name": "Qualified", "order": 3, "color": "#f59e0b"},
    {"name": "Proposal Sent", "order": 4, "color": "#06b6d4"},
    {"name": "Negotiation", "order": 5, "color": "#ec4899"},
    {"name": "Closed Won", "order": 6, "color": "#10b981"},
    {"name": "Closed Lost", "order": 7, "color": "#64748b"},
]

DEFAULT_LEAD_SOURCES = [
    {"name": "Website"},
    {"name": "Referral"},
    {"name": "Social Media"},
    {"name": "Email Campaign"},
    {"name": "Cold Call"},
    {"name": "Walk-in"},
    {"name": "Other"},
]

DEFAULT_LEAD_STATUSES = [
    {"name": "New", "color": "#3b82f6"},
    {"name": "In Progress", "color": "#f59e0b"},
    {"name": "Hot", "color": "#ef4444"},
    {"name": "Warm", "color": "#f97316"},
    {"name": "Cold", "color": "#64748b"},
    {"name": "Converted", "color": "#10b981"},
    {"name": "Lost", "color": "#6b7280"},
]

# Collection name -> rows
REFERENCE_DATA = {
    "pipeline_stages": DEFAULT_PIPELINE_STAGES,
    "lead_sources": DEFAULT_LEAD_SOURCES,
    "lead_statuses": DEFAULT_LEAD_STATUSES,
}

DEFAULT_SETTINGS = {
    "companyName": "",
    "companyEmail": "",
    "companyPhone": "",
    "dateFormat": "MM/DD/YYYY",
    "timeFormat": "12h",
    "timezone": "UTC",
}

# Dashboard: a lead is closed once it reaches one of these stages
CONVERTED_STATUS = "Closed Won"
CLOSED_STATUSES = ["Closed Won", "Closed Lost"]
