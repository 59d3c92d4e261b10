"""
Data Processing Module

Utilities behind the two tutorial posts:
- Employment demographics: tidy transformation, k-means clustering, figures
- NBER paper titles: joins, tf-idf features, multiclass lasso tuning, figures
- Publication: Excel exports and static HTML rendering
"""
