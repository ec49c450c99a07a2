"""Users module: borrower/approver identity"""
