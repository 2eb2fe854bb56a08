# Domain services
# Pure aggregation over records; the components supply records from a store
