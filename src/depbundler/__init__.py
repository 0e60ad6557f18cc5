# -*- coding: utf-8 -*-
import logging


root_logger = logging.getLogger(__name__)
