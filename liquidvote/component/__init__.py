'''Reusable components of voting method evaluators.'''
