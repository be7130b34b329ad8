import time

_this_year = time.strftime("%Y")
__version__ = "0.1.0dev"
__author__ = "Dan Dale"
__author_email__ = "danny.dale@gmail.com"
__license__ = "Apache-2.0"
__copyright__ = f"Copyright (c) 2023-{_this_year}, {__author__}"
