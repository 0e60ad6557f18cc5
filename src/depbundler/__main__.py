# -*- coding: utf-8 -*-
from depbundler.cli import main


if __name__ == '__main__':
    main()
