"""Review-record mutations and dashboard queries."""
