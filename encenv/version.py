"""encenv Meta information.
   encenv decrypts a local encrypted environment file and hands its
   variables to the calling shell without writing plaintext to disk.
"""
__title__ = 'encenv'
__description__ = (
   'Load sops-encrypted environment files into a shell session '
   'without writing plaintext to disk.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2026 encenv contributors'
__author__ = 'encenv contributors'
__license__ = 'Apache-2.0'
