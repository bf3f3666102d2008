"""Engine operations, independent of any transport"""
