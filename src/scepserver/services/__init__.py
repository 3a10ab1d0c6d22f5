"""
Services - CA bootstrap, signing pipeline and the SCEP service.
"""
