"""
FairWatch: fairness metrics and bias monitoring for hiring processes.
"""

from fairwatch.utils.constants import APP_NAME, VERSION

__app_name__ = APP_NAME
__version__ = VERSION
