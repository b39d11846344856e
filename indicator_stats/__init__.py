"""
Indicator Statistics — national development indicator tracking core

Data model and aggregation engine for indicators broken down by geography,
age, gender, residential area and social category, with yearly followups.

To plug in a real administrative hierarchy:
    Implement geography.GeographicHierarchy (lookup_entity, list_entities)
    over the division tables, or load the division workbook with
    loaders.load_geo_hierarchy(path). The engine never queries the divisions
    any other way.

To connect to a web front end:
    Call the statistics.StatisticsEngine entry points (filtered statistics,
    chart data, global summary, comparison, available years). Each returns
    plain dicts and lists ready for JSON.

To add a new breakdown value (age bracket, social category...):
    Add a member to the matching enum in config. Validation and chart labels
    pick it up from there.
"""
