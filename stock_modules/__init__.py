"""
Stock Modules

Business modules built on the stock kernel and engines:
- raw_materials: material master and lot/movement mutations
- reporting: raw material reports and CSV export
- sales: store discount summary
"""
