"""Manufacturing context aggregation across ERP, MES and SCADA entity services."""
