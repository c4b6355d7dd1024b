"""Static taxonomies shared by the matching pipeline and the directory."""
