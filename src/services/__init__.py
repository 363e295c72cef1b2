"""SiteBudget services.

- draft_normalizer: repairs raw analysis drafts into document estimates
- consistency_engine: folds item -> document -> project totals
- dual_unit_view: shared display derivation and toggle state
- manual_insertion: user-authored line items
- export_synchronizer, pdf_generator, workbook_generator: exports
- llm_service, analysis_service: analysis collaborator boundary
- session: process-wide estimate state
"""
