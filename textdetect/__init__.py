"""Local document text detection: async jobs producing PAGE/LINE/WORD blocks."""
